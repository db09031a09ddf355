"""Request controllers for the cardgate application."""

from . import access, admin, authentication
