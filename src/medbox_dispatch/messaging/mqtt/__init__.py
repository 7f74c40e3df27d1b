from .connection import MqttConnectionManager

__all__ = ["MqttConnectionManager"]
