import logging
import os

from dotenv import load_dotenv
from tortoise import Tortoise, connections

from helpers.errors import StorageError

load_dotenv()

log = logging.getLogger("storage")

MODEL_MODULES = [
    "models.user",
    "models.conversation",
]


def build_config(database_url: str, with_aerich: bool = True) -> dict:
    modules = MODEL_MODULES + (["aerich.models"] if with_aerich else [])
    return {
        "connections": {"default": database_url},
        "apps": {"models": {"models": modules, "default_connection": "default"}},
    }


# read by aerich (see [tool.aerich] in pyproject.toml)
TORTOISE_CONFIG = build_config(os.getenv("DATABASE_URL", "sqlite://db.sqlite3"))


async def init_storage(database_url: str, generate_schemas: bool = False) -> None:
    await Tortoise.init(config=build_config(database_url))
    if generate_schemas:
        await Tortoise.generate_schemas(safe=True)
    log.info("storage connected (%s)", database_url.split("://", 1)[0])


async def check_storage() -> None:
    """Round-trip a trivial query; raises StorageError if the DB doesn't answer."""
    try:
        await connections.get("default").execute_query("SELECT 1")
    except Exception as e:
        raise StorageError(f"Storage health check failed: {e}") from e


async def close_storage() -> None:
    await connections.close_all()
