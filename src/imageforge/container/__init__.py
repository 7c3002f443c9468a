"""
ImageForge container module.
"""

from imageforge.container.launcher import ContainerLauncher

__all__ = ["ContainerLauncher"]
