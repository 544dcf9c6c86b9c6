"""Remote Bundle Source implementations.

Submodules:
    source - RemoteBundleSource protocol, StaticBundleSource, bundle_version
    http   - HttpBundleSource (httpx)

Python 3.13+.
"""

from langbundle.remote.http import HttpBundleSource
from langbundle.remote.source import RemoteBundleSource, StaticBundleSource, bundle_version

__all__ = [
    "HttpBundleSource",
    "RemoteBundleSource",
    "StaticBundleSource",
    "bundle_version",
]
