import argparse
import platform
import sys

from pathlib import Path


PROJECT_ROOT = Path(__file__).resolve().parents[1]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from reviewmix.config import LOGS_DIR, RAW_DB_FILE  # noqa: E402
from reviewmix.utils.logging import package_versions, write_json  # noqa: E402


def main() -> None:
    parser = argparse.ArgumentParser(description="Record interpreter, package versions and dataset availability.")
    parser.add_argument("--db", type=Path, default=RAW_DB_FILE, help="Review sqlite database to check.")
    parser.add_argument("--outdir", type=Path, default=LOGS_DIR.parent, help="Output directory (default: outputs/).")
    args = parser.parse_args()

    info = {
        "python_version": sys.version,
        "platform": platform.platform(),
        "packages": package_versions(),
        "dataset_path": str(args.db),
        "dataset_exists": args.db.exists(),
    }
    out_path = args.outdir / "logs" / "environment_check.json"
    write_json(out_path, info)
    print(f"Wrote {out_path}")


if __name__ == "__main__":
    main()
