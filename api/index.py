from mangum import Mangum
import sys
import os

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from menu_ledger.api import create_app
from menu_ledger.config import Settings

# Serverless filesystems are read-only outside /tmp.
settings = Settings.from_env()
if settings.storage == "json" and not os.path.isabs(settings.data_dir):
    settings.data_dir = os.path.join("/tmp", settings.data_dir)
settings.log_file = None

app = create_app(settings=settings)
app.root_path = "/api"

handler = Mangum(app)
