"""Action modules reachable through /action."""

from lixian.modules.aria2 import Aria2Client, Aria2Error, Aria2Module
from lixian.modules.cookies import CookiesModule

__all__ = ["Aria2Client", "Aria2Error", "Aria2Module", "CookiesModule"]
