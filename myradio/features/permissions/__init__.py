"""
Permission rules feature module.

Maps (service, module, action) to the permission types that may open it, and
holds the process-wide vocabulary of permission types.
"""
