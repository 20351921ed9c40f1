"""
System components for embedmath.

This module provides configuration and logging setup.
"""

from embedmath.components.config import Config, ConfigManager, configure_logging
