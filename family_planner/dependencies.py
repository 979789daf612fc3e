from functools import lru_cache

from fastapi import Depends

from family_planner.config import PERSISTENCE_BACKEND, PREFERENCES_PATH
from family_planner.database import get_session_factory, init_db
from family_planner.planner import FamilyPlanner
from family_planner.preferences import JsonFilePreferenceStore
from family_planner.repository import InMemoryGateway, PersistenceGateway, SQLAlchemyGateway


def build_gateway(backend: str = PERSISTENCE_BACKEND) -> PersistenceGateway:
    if backend == "sql":
        init_db()
        return SQLAlchemyGateway(get_session_factory()())
    if backend == "memory":
        return InMemoryGateway()
    raise ValueError(f"Unknown persistence backend '{backend}'")


# --- Dependencies ---
@lru_cache(maxsize=1)
def get_planner() -> FamilyPlanner:
    """The single UI session served by this process."""
    return FamilyPlanner(gateway=build_gateway(), preferences=JsonFilePreferenceStore(PREFERENCES_PATH))


async def get_loaded_planner(planner: FamilyPlanner = Depends(get_planner)) -> FamilyPlanner:
    if not planner.loaded:
        await planner.load_all()
    return planner
