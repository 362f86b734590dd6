# examples/example_iterator.py
import logging
import os
import tempfile
import zipfile

from munzip import ArchiveReader, ZipIterator, ZipReadError

def make_sample_zip(path):
    with zipfile.ZipFile(path, "w", compression=zipfile.ZIP_DEFLATED) as z:
        z.writestr("payload/data1.csv", "a,b,c\n1,2,3\n")
        z.writestr("payload/data2.csv", "x,y,z\n4,5,6\n")
        z.writestr("top.txt", "hello\n", compress_type=zipfile.ZIP_STORED)
        z.writestr("docs/readme.md", "# readme\n")

def main():
    logging.basicConfig(level=logging.DEBUG, format="%(levelname)s %(name)s %(message)s")

    with tempfile.TemporaryDirectory() as td:
        zpath = os.path.join(td, "bundle.zip")
        make_sample_zip(zpath)

        # Raw iterator over any seekable binary stream
        with open(zpath, "rb") as f:
            try:
                for entry in ZipIterator(f, verify_crc=True):
                    print("Entry:", entry.filename, entry.header.date_time, entry.data[:16])
            except ZipReadError as e:
                print("Stopped:", e)

        # Driver: extract everything below td/out
        with ArchiveReader(zpath, verify_crc=True) as nav:
            ok, failed = nav.extract_all(os.path.join(td, "out"), on_error="skip")
            print("Written:", [os.path.relpath(p, td) for p in ok])
            print("Failed:", failed)

if __name__ == "__main__":
    main()
