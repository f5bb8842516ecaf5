"""RPG Chargen — dev launcher. Starts the API server in watch mode."""

import argparse
import logging
import os
from pathlib import Path

import uvicorn
from dotenv import load_dotenv

ROOT = Path(__file__).parent
load_dotenv(ROOT / ".env")

HOST = os.getenv("HOST", "0.0.0.0")
PORT = int(os.getenv("PORT", "13013"))


def main():
    parser = argparse.ArgumentParser(description="RPG Chargen dev launcher")
    parser.add_argument("--data-dir", type=Path, default=None,
                        help="Data storage directory (default: ./data)")
    parser.add_argument("--demo", action="store_true",
                        help="Clean and create demo tables and a demo character")
    args = parser.parse_args()

    logging.basicConfig(
        level=os.getenv("CHARGEN_LOG_LEVEL", "INFO").upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    # The server process reads DATA_DIR, so hand it the same directory
    data_dir = args.data_dir or Path(os.getenv("DATA_DIR", str(ROOT / "data")))
    os.environ["DATA_DIR"] = str(data_dir.resolve())

    if args.demo:
        from rpg_chargen.demo import create_demo_data
        from rpg_chargen.storage import Storage
        create_demo_data(Storage(data_dir))
        print(f"Demo data written to {data_dir}")

    print(f"Starting API on http://localhost:{PORT} ...")
    uvicorn.run("rpg_chargen.api.app:app", host=HOST, port=PORT, reload=True)


if __name__ == "__main__":
    main()
