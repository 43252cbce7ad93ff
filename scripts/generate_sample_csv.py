"""Write a sample student import CSV.

Usage: python -m scripts.generate_sample_csv [count] [output]
"""

import sys
from pathlib import Path

from app.services.csv_import import build_sample_csv

count = int(sys.argv[1]) if len(sys.argv) > 1 else 50
output = Path(sys.argv[2]) if len(sys.argv) > 2 else Path("sample_students.csv")

output.write_text(build_sample_csv(count), encoding="utf-8")
print(f"Wrote {count} students to {output}")
