"""
Configuration for landmark generation.
"""

from .config import Settings, get_settings, load_env_file, settings

__all__ = ['Settings', 'get_settings', 'load_env_file', 'settings']
