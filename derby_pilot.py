#!/usr/bin/env python

# Runs the controller from the root of the project; the script's directory
# is on sys.path, so the derby_pilot package is importable without installing.
from derby_pilot.main import main

if __name__ == "__main__":
    main()
