# Copyright 2025 Accelerated Cloud Storage Corporation. All Rights Reserved
'''
This example demonstrates how to read and write files through a bucketfs mount.

Setup:
    # Install the package
    pip install bucketfs

    # Install FUSE on your system
    # On Ubuntu/Debian:
    sudo apt-get install fuse

    # Create a mount point and mount the store
    mkdir -p /mnt/buckets
    python -m bucketfs.fuse /mnt/buckets --config bucketfs.yaml

Usage:
    python fuse_operations.py <mountpoint>

    # Unmount when done
    fusermount -u /mnt/buckets

Troubleshooting:
    # Log every operation to stderr
    python -m bucketfs.fuse /mnt/buckets -e -l DEBUG --trace
'''
import sys
import os

def main():
    if len(sys.argv) != 2:
        print("Usage: python fuse_operations.py <mountpoint>")
        sys.exit(1)

    mountpoint = sys.argv[1]
    bucket_dir = os.path.join(mountpoint, "example-bucket")
    example_file = os.path.join(bucket_dir, "example.txt")

    # Buckets are the only directories
    try:
        os.mkdir(bucket_dir)
        print(f"Bucket created: {bucket_dir}")
    except OSError as e:
        print(f"Mkdir failed: {e}")
        return

    # Write to a file; the object is uploaded on close
    try:
        with open(example_file, 'w') as f:
            f.write("Hello FUSE")
        print(f"File created and written: {example_file}")
    except OSError as e:
        print(f"Write operation failed: {e}")

    # Read from the file
    try:
        with open(example_file, 'r') as f:
            content = f.read()
        print(f"Content read from file: {content}")
    except OSError as e:
        print(f"Read operation failed: {e}")

    # Nested directories are not supported
    try:
        os.mkdir(os.path.join(bucket_dir, "nested"))
    except OSError as e:
        print(f"Nested mkdir rejected as expected: {e}")

    # Delete the file and the bucket
    try:
        os.remove(example_file)
        os.rmdir(bucket_dir)
        print(f"Removed {example_file} and {bucket_dir}")
    except OSError as e:
        print(f"Delete operation failed: {e}")

if __name__ == '__main__':
    main()
