"""HTTP API for Big Picture Auction."""
