#!/usr/bin/env python3
from fennica.cli import main

if __name__ == "__main__":
    main()
