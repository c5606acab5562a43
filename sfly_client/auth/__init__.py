"""
Authentication package for the Shutterfly Session Keeper.

This package contains the session resolver together with session storage,
session validation, token extraction and the remote login procedure.
"""
