"""
Shared clients, configuration and data models
"""
