"""
Command handlers for the pluginrepo CLI.
"""
