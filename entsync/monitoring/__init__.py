from .event_stream import EventLogger, JsonLogHandler, JsonLogCollector

__all__ = ['EventLogger', 'JsonLogHandler', 'JsonLogCollector']
