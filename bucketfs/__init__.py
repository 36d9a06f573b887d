"""
bucketfs - a two-level object store presented as a filesystem.

Buckets appear as directories under the root and objects as files inside
them. See bucketfs.fs for the adapter and bucketfs.client for backends.
"""

__version__ = "0.1.0"
