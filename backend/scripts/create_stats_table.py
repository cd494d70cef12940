import os
import sys

sys.path.insert(0, os.path.dirname(os.path.abspath(__file__)) + '/..')

from repo_stats import StatsRepo, create_table_sql
from settings import Settings

settings = Settings.from_env()

print('Provisioning', settings.db_driver.value, 'backend')
print(create_table_sql(settings.db_driver))
StatsRepo(settings).provision_schema()
print('DDL applied')
