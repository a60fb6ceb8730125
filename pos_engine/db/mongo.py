#db file
from functools import lru_cache

from pymongo import MongoClient
import certifi
from pos_engine.config import MONGODB_URI, DB_NAME, INGREDIENT_COLL, ADDON_COLL, MENU_COLL


@lru_cache(maxsize=1)
def get_db():
    # connected on first use so the engine imports without a database
    client = MongoClient(
        MONGODB_URI,
        tls=True,
        tlsCAFile=certifi.where(),
        serverSelectionTimeoutMS=30000,
    )
    return client[DB_NAME]


def ingredients():
    return get_db()[INGREDIENT_COLL]

def addons():
    return get_db()[ADDON_COLL]

def menu_items():
    return get_db()[MENU_COLL]
