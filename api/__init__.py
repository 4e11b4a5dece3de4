"""HTTP surface for the v4swap quote and swap engine."""
