import logging
import os
from pathlib import Path

from dotenv import load_dotenv
from fastapi import FastAPI

from rpg_chargen.api import router
from rpg_chargen.skills import SkillProgression
from rpg_chargen.storage import Storage

load_dotenv(Path(__file__).parent.parent.parent / ".env")

DEFAULT_DATA_DIR = Path(__file__).parent.parent.parent / "data"

logger = logging.getLogger(__name__)


def create_app(data_dir: Path | None = None, skills: SkillProgression | None = None) -> FastAPI:
    resolved = data_dir or Path(os.getenv("DATA_DIR", str(DEFAULT_DATA_DIR)))

    app = FastAPI(title="RPG Chargen")
    app.state.storage = Storage(resolved)
    app.state.skills = skills
    app.include_router(router, prefix="/api")

    logger.info("data dir: %s", resolved)
    return app


# Default app instance for uvicorn (uses DATA_DIR env var or default)
app = create_app()
