"""Services for Big Picture Auction."""
