"""
Request-level service for uploads, geometry analysis and cost calculation.

Each request is independent. The only state shared between requests is the
read-only material table and the upload directory, so worker threads need
no locks. Parsing and analysis run on a ThreadPoolExecutor; callers either
wait on the returned Future or await analyze_async(). A running analysis
cannot be cancelled; a timeout only stops the caller from waiting.

Usage:
    with QuoteService(load_config()) as service:
        stored = service.accept_upload("bracket.stl", payload)
        metrics = service.analyze(stored.reference)
        quote = service.create_quote(
            {"material": "steel", "thickness": 5, "quantity": 10},
            reference=stored.reference,
        )
"""

import asyncio
import logging
import uuid
from concurrent.futures import Future, ThreadPoolExecutor
from concurrent.futures import TimeoutError as FutureTimeoutError
from typing import Any, Dict, Mapping, Optional

from stl_quote.errors import AnalysisTimeoutError, QuoteError
from stl_quote.geometry.mesh_stats import GeometryMetrics
from stl_quote.io.upload import StoredUpload, UploadStore
from stl_quote.logging_config import LogContext
from stl_quote.pipeline import analyze_file
from stl_quote.pricing.estimator import CostBreakdown, CostInputs, estimate_cost
from stl_quote.pricing.quote import Quote, assemble_quote
from stl_quote.project_config import ProjectConfig

logger = logging.getLogger(__name__)

_DEFAULT = object()


class QuoteService:
    """Owns the upload store and the analysis worker pool."""

    def __init__(self, config: Optional[ProjectConfig] = None):
        self.config = config or ProjectConfig()
        self.config.validate()
        self.store = UploadStore(
            upload_dir=self.config.upload.upload_dir,
            max_bytes=self.config.upload.max_bytes,
            allowed_extensions=self.config.upload.allowed_extensions,
        )
        self._executor = ThreadPoolExecutor(
            max_workers=self.config.analysis.max_workers,
            thread_name_prefix="stl-quote",
        )

    def __enter__(self) -> 'QuoteService':
        return self

    def __exit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        self.close()

    def close(self, wait: bool = True) -> None:
        self._executor.shutdown(wait=wait)

    # ------------------------------------------------------------------
    # Upload
    # ------------------------------------------------------------------

    def accept_upload(self, filename: str, payload: bytes) -> StoredUpload:
        """Validate and store an uploaded part file."""
        return self.store.save(filename, payload)

    # ------------------------------------------------------------------
    # Geometry
    # ------------------------------------------------------------------

    def _analyze_job(self, reference: str, request_id: str) -> GeometryMetrics:
        with LogContext(request_id=request_id, upload=reference):
            return analyze_file(self.store.resolve(reference))

    def submit_analysis(self, reference: str) -> 'Future[GeometryMetrics]':
        """Schedule parse + analysis of a stored upload.

        The Future resolves to GeometryMetrics or raises the QuoteError that
        stopped the parse.
        """
        request_id = uuid.uuid4().hex[:12]
        logger.debug("Submitting analysis of %s as %s", reference, request_id)
        return self._executor.submit(self._analyze_job, reference, request_id)

    def _timeout(self, timeout: Any) -> Optional[float]:
        if timeout is _DEFAULT:
            return self.config.analysis.timeout_seconds
        return timeout

    def analyze(self, reference: str, timeout: Any = _DEFAULT) -> GeometryMetrics:
        """Analyze a stored upload and wait for the result.

        Args:
            reference: reference returned by accept_upload
            timeout: seconds to wait; defaults to analysis.timeout_seconds,
                None waits without limit

        Raises:
            AnalysisTimeoutError: result not ready in time (recoverable)
            QuoteError: parse failure
        """
        timeout = self._timeout(timeout)
        future = self.submit_analysis(reference)
        try:
            return future.result(timeout=timeout)
        except FutureTimeoutError:
            logger.warning("Analysis of %s timed out after %ss", reference, timeout)
            raise AnalysisTimeoutError(reference, timeout) from None

    async def analyze_async(self, reference: str, timeout: Any = _DEFAULT) -> GeometryMetrics:
        """Coroutine form of analyze() for asyncio callers."""
        timeout = self._timeout(timeout)
        future = asyncio.wrap_future(self.submit_analysis(reference))
        try:
            return await asyncio.wait_for(future, timeout)
        except asyncio.TimeoutError:
            logger.warning("Analysis of %s timed out after %ss", reference, timeout)
            raise AnalysisTimeoutError(reference, timeout) from None

    # ------------------------------------------------------------------
    # Pricing
    # ------------------------------------------------------------------

    def calculate_cost(self, request: Mapping[str, Any]) -> CostBreakdown:
        """Validate a {material, thickness, quantity} record and price it."""
        return estimate_cost(CostInputs.from_request(request))

    def create_quote(
        self,
        request: Mapping[str, Any],
        reference: Optional[str] = None,
        timeout: Any = _DEFAULT,
    ) -> Quote:
        """Price a request, attaching geometry when a stored upload is named."""
        inputs = CostInputs.from_request(request)
        breakdown = estimate_cost(inputs)

        metrics = None
        source_name = None
        if reference is not None:
            metrics = self.analyze(reference, timeout=timeout)
            source_name = UploadStore.original_name(reference)

        return assemble_quote(inputs, breakdown, metrics=metrics, source_name=source_name)

    # ------------------------------------------------------------------
    # Boundary adapters (JSON-like in, JSON-like out)
    # ------------------------------------------------------------------

    def handle_upload(self, filename: str, payload: bytes) -> Dict[str, Any]:
        """Upload boundary: {message, filename, path} or {error}."""
        try:
            return self.accept_upload(filename, payload).to_dict()
        except QuoteError as exc:
            logger.info("Upload of %s rejected: %s", filename, exc)
            return {'error': str(exc)}

    def handle_cost_request(self, request: Mapping[str, Any]) -> Dict[str, Any]:
        """Cost boundary: {baseCost, ..., totalCost} or {error}."""
        try:
            return self.calculate_cost(request).to_dict()
        except QuoteError as exc:
            logger.info("Cost request rejected: %s", exc)
            return {'error': str(exc)}
