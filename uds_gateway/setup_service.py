# uds_gateway/setup_service.py
"""Scaffold a socket-backed service and the web root that proxies to it.

    proxy-service-setup <service dir> <service webroot>

The service dir gets a ``run`` script and an ``app`` placeholder; the app is
expected to serve HTTP on ``<service dir>/socket``. The web root gets an
``.htaccess`` routing every request to ``index.cgi``, which runs the gateway
against that socket. Files that already exist are left alone.
"""
import argparse
import logging
import sys
from pathlib import Path
from string import Template

logger = logging.getLogger(__name__)

RUN_SCRIPT = """\
#!/bin/sh
cd "$(dirname "$0")" || exit 1
rm -f socket
exec ./app
"""

APP_PLACEHOLDER = """\
#!/bin/sh
echo "replace this file with the service; it must listen on $(pwd)/socket" >&2
exit 1
"""

HTACCESS = """\
Options +ExecCGI
AddHandler cgi-script .cgi
CGIPassAuth On
DirectoryIndex index.cgi
RewriteEngine On
RewriteRule ^index\\.cgi$ - [L]
RewriteRule ^ index.cgi [L]
"""

INDEX_CGI = Template("""\
#!${python}
from uds_gateway.config import Settings
from uds_gateway.main import cgi_main

cgi_main(Settings(service_sock=${service_sock}))
""")


def write_if_missing(path: Path, content: str, mode: int) -> bool:
    if path.exists():
        logger.info("Keeping existing %s", path)
        return False
    path.write_text(content)
    path.chmod(mode)
    logger.info("Wrote %s", path)
    return True


def setup(service_dir: str | Path, webroot: str | Path, python: str = sys.executable) -> list[Path]:
    """Create missing files for the service and its web root; return what was written."""
    service_dir = Path(service_dir).resolve()
    webroot = Path(webroot).resolve()
    written = []

    service_dir.mkdir(parents=True, exist_ok=True)
    for name, content in (("run", RUN_SCRIPT), ("app", APP_PLACEHOLDER)):
        if write_if_missing(service_dir / name, content, 0o755):
            written.append(service_dir / name)

    webroot.mkdir(parents=True, exist_ok=True)
    if write_if_missing(webroot / ".htaccess", HTACCESS, 0o644):
        written.append(webroot / ".htaccess")
    index = INDEX_CGI.substitute(
        python=python, service_sock=repr(str(service_dir / "socket"))
    )
    if write_if_missing(webroot / "index.cgi", index, 0o755):
        written.append(webroot / "index.cgi")
    return written


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(
        prog="proxy-service-setup",
        description="Scaffold a unix-socket service and the web root proxying to it.",
    )
    parser.add_argument("service_dir")
    parser.add_argument("webroot")
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s %(levelname)-8s %(name)s %(message)s",
    )
    setup(args.service_dir, args.webroot)
    return 0


if __name__ == "__main__":
    sys.exit(main())
