"""Salla marketplace adapters."""

from darkhorse.adapters.salla.client import SallaConfig, SallaOAuthClient

__all__ = ["SallaConfig", "SallaOAuthClient"]
