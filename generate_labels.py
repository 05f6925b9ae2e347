#!/usr/bin/env python3

"""
Render barcode labels from a CSV or JSON data file.
"""

# Standard Library
import sys

# local repo modules
import barcode_label_studio as bls
import barcode_label_studio.cli


if __name__ == "__main__":
	sys.exit(bls.cli.main())
