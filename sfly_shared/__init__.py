"""
Shared components for the Shutterfly Session Keeper.

This package contains the session data models, collaborator interfaces,
exception hierarchy and logging configuration.
"""
