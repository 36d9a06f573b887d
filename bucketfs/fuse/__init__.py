"""
FUSE mount for bucketfs.

Importing fuse_mount loads libfuse, so it is imported on demand:

    from bucketfs.fuse.fuse_mount import BucketFS, mount
"""
