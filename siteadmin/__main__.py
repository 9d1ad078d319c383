"""siteadmin entry point: load config, set up logging, serve the admin API."""

import logging
import sys

from siteadmin.config import load_config, resolve_csv_paths
from siteadmin.server import create_app

log = logging.getLogger("siteadmin")


def main() -> None:
    from aiohttp import web

    config = load_config()

    logging.basicConfig(
        level=getattr(logging, str(config["logging"]["level"]).upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        stream=sys.stderr,
    )

    for key, path in resolve_csv_paths(config).items():
        if not path.exists():
            log.warning("CSV file for %s not found: %s", key, path)

    app = create_app(config)
    server = config["server"]
    log.info("Serving admin API on %s:%s (production=%s)", server["host"], server["port"], server["production"])
    web.run_app(app, host=server["host"], port=server["port"], print=None)


if __name__ == "__main__":
    main()
