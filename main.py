"""
ClinXR - Clinical Dashboard Client
==================================

Command line entry point for the ClinXR client core. It exercises the same
session, backend clients and error handling the dashboard screens use:

    python main.py login --username alice
    python main.py patients
    python main.py status
    python main.py logout

Backend addresses come from CLINXR_PRIMARY_API_URL, CLINXR_GENOMIC_API_URL
and CLINXR_AGGREGATOR_API_URL (local-development defaults otherwise).
"""

import argparse
import getpass
import logging
import sys

from clinxr.utils.logger import setup_logging, shutdown_logging
from clinxr.core.auth import AuthService, LoginError
from clinxr.core.backend_client import BackendClientFactory
from clinxr.core.config import APP_NAME, DASHBOARD_PATH
from clinxr.core.interceptors import RequestFailedError, UnauthenticatedError
from clinxr.core.navigation import Navigator
from clinxr.core.records_api import RecordsAPI
from clinxr.core.session import SessionStore


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="clinxr", description=f"{APP_NAME} dashboard client")
    parser.add_argument("--verbose", action="store_true", help="Show debug output on the console")
    sub = parser.add_subparsers(dest="command", required=True)

    login = sub.add_parser("login", help="Authenticate and store the session credential")
    login.add_argument("--username", required=True)
    login.add_argument("--password", help="Prompted for when omitted")

    sub.add_parser("logout", help="Forget the stored credential")
    sub.add_parser("status", help="Show whether a credential is stored")
    sub.add_parser("patients", help="List patients from the primary backend")
    return parser


def run(args: argparse.Namespace, session: SessionStore) -> int:
    """Execute one command. Returns the process exit code."""
    logger = logging.getLogger(__name__)
    navigator = Navigator(session)

    with BackendClientFactory(session, navigator) as factory:
        auth = AuthService(factory)

        if args.command == "login":
            password = args.password or getpass.getpass("Password: ")
            try:
                auth.login(args.username, password)
            except LoginError as e:
                print(e.user_message)
                return 1
            print(f"Logged in as {args.username}")
            return 0

        if args.command == "logout":
            auth.logout()
            print("Logged out")
            return 0

        if args.command == "status":
            print("Logged in" if session.is_authenticated else "Logged out")
            return 0

        if args.command == "patients":
            if navigator.guard(DASHBOARD_PATH) is not None:
                print("Not logged in")
                return 1
            navigator.navigate(DASHBOARD_PATH)
            try:
                patients = RecordsAPI(factory).patients.list()
            except UnauthenticatedError:
                print("Session expired, please log in again")
                return 1
            except RequestFailedError as e:
                logger.error(f"Failed to fetch patients: {e}")
                print(e.user_message)
                return 1

            for patient in patients:
                print(f"{patient.id}\t{patient.name}\t{patient.age if patient.age is not None else ''}\t{patient.address}")
            return 0

    return 2


def main(argv=None) -> int:
    args = build_parser().parse_args(argv)
    setup_logging(console_level=logging.DEBUG if args.verbose else logging.WARNING)
    logger = logging.getLogger(__name__)

    try:
        return run(args, SessionStore())
    except Exception as e:
        logger.critical(f"Fatal error in {APP_NAME}: {e}", exc_info=True)
        raise
    finally:
        shutdown_logging()


if __name__ == "__main__":
    sys.exit(main())
