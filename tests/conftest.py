"""
Pytest configuration for local imports and shared data files.
"""

# Standard Library
import csv
import os
import sys

# PIP3 modules
import pytest

#============================================


def _ensure_repo_on_path() -> None:
	"""
	Ensure the repository root is on sys.path.
	"""
	repo_root = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
	if repo_root not in sys.path:
		sys.path.insert(0, repo_root)


_ensure_repo_on_path()

ITEM_ROWS = [
	{"SKU": "400638133393", "Name": "Hex bolt M6", "Price": "0.40", "Qty": "2"},
	{"SKU": "012345678905", "Name": "Washer 6 mm", "Price": "0.05", "Qty": "3"},
	{"SKU": "", "Name": "Unlabeled bin", "Price": "", "Qty": "1"},
	{"SKU": "036000291452", "Name": "Wing nut", "Price": "0.25", "Qty": "0"},
]


#============================================
@pytest.fixture
def items_csv(tmp_path):
	"""
	Write a small inventory CSV.

	Returns:
		Path to the CSV file.
	"""
	path = tmp_path / "items.csv"
	with path.open("w", encoding="utf-8", newline="") as handle:
		writer = csv.DictWriter(handle, fieldnames=list(ITEM_ROWS[0]))
		writer.writeheader()
		writer.writerows(ITEM_ROWS)
	return path
