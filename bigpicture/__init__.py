"""Big Picture Auction: movie stats reconciliation and scoring."""

__version__ = "0.1.0"
