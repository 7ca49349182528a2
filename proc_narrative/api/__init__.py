"""HTTP surface for narrative generation."""
