# examples/example_quickstart.py
from munzip import ArchiveReader

# Open an existing ZIP
with ArchiveReader("bundle.zip") as nav:
    # List entries in central directory order
    print("Entries:", nav.namelist())

    # Read a file as text
    print("data1.csv contents:")
    print(nav.cat("payload/data1.csv"))

    # Walk every entry with its decompressed bytes
    for entry in nav:
        print(entry.filename, len(entry.data), "bytes", entry.header.compress_type)
