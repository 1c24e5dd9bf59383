"""Application interfaces."""

from .domain_event_publisher import DomainEventPublisher

__all__ = ["DomainEventPublisher"]
