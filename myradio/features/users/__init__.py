"""
Members, officerships and the principals derived from them.
"""
