"""Central constants for Streamlit session state keys and defaults."""

SS_VIEWS: str = "collection_views"
SS_BACKEND_NOTICE: str = "backend_notice_shown"
SS_TASK_SEARCH: str = "task_search_query"
SS_CONTACT_SEARCH: str = "contact_search_term"
SS_CSV_VALIDATION: str = "csv_import_validation"

TABLE_TASKS: str = "tasks"
TABLE_BUDGET_ITEMS: str = "budget_items"
TABLE_PARTNERSHIPS: str = "partnerships"
TABLE_MARKETING_CAMPAIGNS: str = "marketing_campaigns"
TABLE_DAILY_METRICS: str = "daily_metrics"
TABLE_CONTACTS: str = "contacts"
TABLE_INVENTORY_ITEMS: str = "inventory_items"

DEBOUNCE_SECONDS: float = 0.8
DEFAULT_POLL_SECONDS: float = 5.0
DEFAULT_HTTP_TIMEOUT: float = 10.0

TOTAL_BUDGET: float = 7000.0
LAUNCH_WEEKS: int = 4
DEFAULT_REORDER_POINT: int = 25
ASSUMED_ORDER_VALUE: float = 50.0

TASK_TEXT_LIMIT: int = 500
TASK_NOTES_LIMIT: int = 1000
