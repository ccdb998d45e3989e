"""
Page objects and components.

Each screen composes an ElementProxy and a Screen anchor and satisfies the
Displayable protocol.
"""

from authflow.pages.base import Displayable, Screen
from authflow.pages.components import LoggedOutMasterbarComponent, NavbarComponent
from authflow.pages.home import WPHomePage
from authflow.pages.login import LoginPage, MagicLoginPage
from authflow.pages.profile import ProfilePage
from authflow.pages.reader import ReaderPage
from authflow.pages.wp_admin import (
    JetpackLoginPage,
    WPAdminDashboardPage,
    WPAdminUpdatesPage,
)

__all__ = [
    "Displayable",
    "JetpackLoginPage",
    "LoggedOutMasterbarComponent",
    "LoginPage",
    "MagicLoginPage",
    "NavbarComponent",
    "ProfilePage",
    "ReaderPage",
    "Screen",
    "WPAdminDashboardPage",
    "WPAdminUpdatesPage",
    "WPHomePage",
]
