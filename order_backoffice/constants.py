DATA_DIR = "data"
DB_FILE_NAME = "orders.db"

TABLE_SCHEMA_VERSION = "schema_version"
SCHEMA_VERSION = "3"

# Typed by the operator before deleting an order that already arrived/settled/returned.
DELETE_CONFIRM_PHRASE = "potvrdjujem da brisem"

DEFAULT_PROFIT_PERCENT = 100.0
# Operator's share of "my profit"; the remainder belongs to the financing partner.
PROFIT_SPLIT_RATIO = 0.5

LIST_PAGE_SIZE = 10
DEFAULT_PAGE_SIZE = 20
MAX_PAGE_SIZE = 100

UNKNOWN_SUPPLIER_LABEL = "Nepoznat dobavljac"
