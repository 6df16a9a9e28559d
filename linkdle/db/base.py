# linkdle/db/base.py
# Import all the models, so that Base has them before create_all() runs
from linkdle.db.base_class import Base
from linkdle.schemas.cache_entry import CacheEntryRecord
