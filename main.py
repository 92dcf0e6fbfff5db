# main.py
import os
import sys
import logging

import config
from recyclebin import database, cli

logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(message)s")


def initialize(db_path=None):
    """
    Initialization logic:
     - verify index DB integrity; a corrupt index is moved aside (it is rebuildable)
     - initialize DB schema
    The trash folder itself is created lazily on the first trash.
    """
    db_path = db_path or config.DB_PATH
    ok, info = database.check_integrity(db_path)
    if not ok:
        bak = db_path + ".corrupt.bak"
        logging.warning("Index database looks corrupt (%s); moving it to %s", info, bak)
        try:
            os.replace(db_path, bak)
        except OSError as e:
            logging.exception("Failed to rename corrupt DB: %s", e)

    try:
        # Initialize/create DB schema (safe to call repeatedly)
        database.init_db(db_path)
    except Exception as e:
        # the index is optional; core operations still work without it
        logging.exception("Database initialization failed: %s", e)

    logging.debug("%s %s started.", config.APP_NAME, config.APP_VERSION)


def main(argv=None):
    args = cli.build_parser().parse_args(argv)
    initialize(cli.index_path(args))
    return cli.execute(args)


if __name__ == "__main__":
    sys.exit(main())
