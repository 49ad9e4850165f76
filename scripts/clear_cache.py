from pathlib import Path
import os
import sys

# Ensure repo root is on sys.path and is the working directory.
ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))
os.chdir(ROOT)

from rateguide.cache_layer import CacheStore
from rateguide.config import settings

if __name__ == '__main__':
    if not settings.cache_enabled:
        print('Cache disabled (CACHE_ENABLED=0); nothing to clear.')
        sys.exit(0)
    cleared = CacheStore(settings.cache_db_path).invalidate_all_sync()
    print('Cleared', cleared, 'cache records from', settings.cache_db_path)
