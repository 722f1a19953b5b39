"""Presentation layer: controller state machine and view implementations."""

from pokiface.ui.controller import AppState, PresentationController, Toast, UIState
from pokiface.ui.view import BaseView

__all__ = ["AppState", "BaseView", "PresentationController", "Toast", "UIState"]
