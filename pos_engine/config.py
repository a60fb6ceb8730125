import os
from dotenv import load_dotenv

load_dotenv()

CURRENCY: str = os.getenv("CURRENCY", "IDR")
# Rupiah has no minor unit in practice
CURRENCY_DECIMALS: int = int(os.getenv("CURRENCY_DECIMALS", "0"))

SERVICE_FEE_ENABLED: bool = os.getenv("SERVICE_FEE_ENABLED", "false").lower() in ("1", "true", "yes")
SERVICE_FEE_TYPE: str = os.getenv("SERVICE_FEE_TYPE", "percent")  # 'percent' or 'rupiah'
SERVICE_FEE_AMOUNT: float = float(os.getenv("SERVICE_FEE_AMOUNT", "2"))

MONGODB_URI = os.getenv(
    "MONGODB_URI"
)
DB_NAME        = os.getenv("DB_NAME", "pos")
INGREDIENT_COLL = os.getenv("INGREDIENT_COLLECTION", "ingredients")
ADDON_COLL     = os.getenv("ADDON_COLLECTION", "addons")
MENU_COLL      = os.getenv("MENU_COLLECTION", "menu_items")

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
