"""
Resource registry: a navigation/menu resource catalog shared by many applications.

The package reconciles the Resources table across the master and tenant databases,
seeds a curated catalog of required rows, and exposes interchangeable store
implementations with a common contract.
"""

__version__ = "0.1.0"
