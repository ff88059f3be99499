from .cache import Loader, Serializer

__all__ = ["Loader", "Serializer"]
