"""Order intake with a transactional outbox, metrics, and an order event processor."""

__version__ = "1.0.0"

__all__ = ["metrics", "store", "outbox", "web", "processor"]