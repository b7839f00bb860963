"""Core services for blinkctl.

Identifier generation, configuration, paths, theming and the
integration coordinator.
"""
