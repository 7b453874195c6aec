from __future__ import annotations

import os

# keep imports of crypto_screener.main from creating log files or starting the loop
os.environ.setdefault("SCREENER_LOG_DIR", "")
os.environ.setdefault("SCREENER_SCHEDULER_ENABLED", "false")
