"""
Client for the Shutterfly Session Keeper.

This package contains the configuration, the session resolver and its
default collaborators, and the command line entry point.
"""
