"""API routers for Big Picture Auction."""
