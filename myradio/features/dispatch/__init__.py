"""
Request dispatch: Module/Action resolution and authorization before any controller runs.
"""
