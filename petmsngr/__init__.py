"""A small messenger service: user sign-up, one-to-one chats and WebSocket message relay."""

__version__ = "0.1.0"