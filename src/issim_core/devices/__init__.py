from .lumped import LumpedDevice, LumpedState

__all__ = ["LumpedDevice", "LumpedState"]
