import sys
import atexit
import logging
from typing import List, Optional

import setproctitle

import hudson_desktop.settings as default_settings
from hudson_desktop.log.setup import setup_logging
from hudson_desktop.shell import HeadlessShell, WebviewShell
from hudson_desktop.local.supervisor import BackendSupervisor

log = logging.getLogger("hudson_desktop")


def main(argv: Optional[List[str]] = None) -> int:
    """The main entry point for the desktop shell."""
    args = list(sys.argv[1:] if argv is None else argv)

    verbose = "--verbose" in args or default_settings.VERBOSE_LOGGING
    setup_logging(logging.DEBUG if verbose else logging.INFO)
    setproctitle.setproctitle(default_settings.PROCESS_TITLE)

    supervisor = BackendSupervisor()
    # Covers exits that bypass the window's close event.
    atexit.register(supervisor.shutdown)

    try:
        if "--headless" in args:
            return HeadlessShell(supervisor).run()
        return WebviewShell(supervisor).run(debug=verbose)
    except KeyboardInterrupt:
        log.warning("Exiting desktop shell due to KeyboardInterrupt.")
        return 130
    finally:
        supervisor.shutdown()


if __name__ == "__main__":
    sys.exit(main())
