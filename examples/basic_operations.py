# Copyright 2025 Accelerated Cloud Storage Corporation. All Rights Reserved.
from bucketfs.client import MemoryBackend
from bucketfs.fs import Dispatcher, Request

def main():
    # Create a dispatcher over an in-memory store
    backend = MemoryBackend()
    dispatcher = Dispatcher(backend)

    try:
        # Create a bucket
        dispatcher.handle(Request.parse("Mkdir", "/my-test-bucket"))
        print("Created bucket: my-test-bucket")

        # Upload an object; nothing is stored until the writer is closed
        data = b"Hello, World!"
        writer = dispatcher.handle(Request.parse("Put", "/my-test-bucket/hello.txt"))
        writer.write_at(data, 0)
        entry = writer.close()
        print(f"Uploaded object: hello.txt as {entry.object_id}")

        # Get object metadata
        stat, = dispatcher.handle(Request.parse("Stat", "/my-test-bucket/hello.txt"))
        print(f"Object size: {stat.size} bytes")
        print(f"Last modified: {stat.mod_time}")

        # Download the object with ranged reads
        reader = dispatcher.handle(Request.parse("Get", "/my-test-bucket/hello.txt"))
        print(f"Downloaded content: {reader.read_all().decode()}")
        print(f"First five bytes: {reader.read_at(5, 0).data.decode()}")

        # List objects in the bucket
        listing = dispatcher.handle(Request.parse("List", "/my-test-bucket"))
        print("Objects in bucket:")
        for obj in listing:
            print(f"- {obj.name} ({obj.size} bytes)")

        # Delete the object
        dispatcher.handle(Request.parse("Remove", "/my-test-bucket/hello.txt"))
        print("Deleted object: hello.txt")

        # Delete the bucket
        dispatcher.handle(Request.parse("Rmdir", "/my-test-bucket"))
        print("Deleted bucket: my-test-bucket")

    finally:
        backend.close()

if __name__ == "__main__":
    main()
