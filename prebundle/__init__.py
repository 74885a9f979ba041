"""
Prebundle - Incremental dependency prebuilding for large module graphs.

Application code changes often; third-party dependency code rarely does.
Prebundle keeps the two apart:
- Tracks which dependencies a compile pass imports
- Fingerprints each one by its installed version
- Rebuilds the shared dependency artifact only when that set changes
- Serves the built artifact straight from its output directory
"""

__version__ = "0.1.0"
