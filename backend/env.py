from dotenv import load_dotenv
import os

load_dotenv()

MONGODB_URI = os.getenv("MONGODB_URI")
MONGODB_DATABASE_NAME = os.getenv("MONGODB_DATABASE_NAME", "package_registry")
GITHUB_PAT = os.getenv("GITHUB_PAT")

# Archive object store (GridFS bucket inside the same database)
ARCHIVE_BUCKET_NAME = os.getenv("ARCHIVE_BUCKET_NAME", "archives")

# Uploads are attributed to this user until auth lands in front of the API
DEFAULT_USER_ID = int(os.getenv("DEFAULT_USER_ID", "1"))
DEFAULT_USER_NAME = os.getenv("DEFAULT_USER_NAME", "ece30861defaultadminuser")

# Query / network limits
PACKAGE_PAGE_SIZE = int(os.getenv("PACKAGE_PAGE_SIZE", "10"))
RANGE_QUERY_TIMEOUT_SECONDS = float(os.getenv("RANGE_QUERY_TIMEOUT_SECONDS", "5.0"))
UPSTREAM_TIMEOUT_SECONDS = float(os.getenv("UPSTREAM_TIMEOUT_SECONDS", "30.0"))
ARCHIVE_STORE_TIMEOUT_SECONDS = float(os.getenv("ARCHIVE_STORE_TIMEOUT_SECONDS", "60.0"))
# Whole-rating budget; fetch_signals issues several upstream calls
SCORING_TIMEOUT_SECONDS = float(os.getenv("SCORING_TIMEOUT_SECONDS", "120.0"))
