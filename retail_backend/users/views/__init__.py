from .auth import LoginView, MeView

__all__ = [
    "LoginView",
    "MeView",
]
