from pathlib import Path
import os
import sys

# Ensure repo root is on sys.path and is the working directory.
ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))
os.chdir(ROOT)

from nova.logging import setup_logging
from nova.config import settings
from nova.db import get_conn, migrate
from nova.pipeline.orchestrator import build_orchestrator

if __name__ == '__main__':
    setup_logging()
    conn = get_conn(settings.db_path)
    migrate(conn)
    run = build_orchestrator(conn).run(trigger="cli")
    marker = ' (new ATH)' if run.record.is_ath else ''
    print(f'Run {run.run_id}')
    print(f'{run.record.date.isoformat()}: ${run.snapshot.net_worth:,.2f}{marker}')
    if run.failed_institutions:
        print('Failed institutions:', ', '.join(run.failed_institutions))
