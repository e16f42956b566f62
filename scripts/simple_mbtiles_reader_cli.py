import sys

from simple_mbtiles_reader.cli import main

if __name__ == "__main__":
    main(sys.argv[1:])
