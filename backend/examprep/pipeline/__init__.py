"""Assessment generation and normalization pipeline."""
