"""
Preview Web Blueprints Package.

Flask Blueprints for the preview server. Each blueprint receives its
collaborators as attributes before create_web_interface() registers it.
"""

from web.blueprints.playback import playback_api

__all__ = ["playback_api"]
