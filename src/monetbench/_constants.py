"""Shared constants for monetbench."""

# Port the daemon of a newly created DB farm listens on
DEFAULT_PORT = 50000

# Farm location when neither --db-farm nor $DB_FARM is given (relative to $HOME)
DEFAULT_FARM_SUBDIR = "db_farms/monetdb"
DB_FARM_ENV_VAR = "DB_FARM"

DEFAULT_LOG_FILE = "monetbench.log"
DEFAULT_CONFIG = "monetbench.yaml"

# Client credentials written to ~/.monetdb so mclient does not prompt
DEFAULT_CREDENTIALS_FILE = ".monetdb"
DEFAULT_USER = "monetdb"
DEFAULT_PASSWORD = "monetdb"

# Timeout for daemon/admin CLI calls, in seconds
DEFAULT_COMMAND_TIMEOUT = 300

TPC_URL = "http://www.tpc.org/tpch/"
IMDB_DATASET_URL = "http://homepages.cwi.nl/~boncz/job/imdb.tgz"
