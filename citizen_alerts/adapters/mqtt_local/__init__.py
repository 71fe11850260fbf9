from .publisher_async import LocalMqttPublisher

__all__ = ["LocalMqttPublisher"]
