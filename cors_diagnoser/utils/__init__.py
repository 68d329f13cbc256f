"""Utilities - configuration loading."""

from cors_diagnoser.utils.config import Config, MiddlewareOptions, load_cors_configuration

__all__ = ["Config", "MiddlewareOptions", "load_cors_configuration"]
