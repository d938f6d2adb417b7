"""
Core services of the bridge: event mapping, polling, resolution, migrations and SCM
"""
