"""STL parsing, upload storage and sample part generation."""
