#!/usr/bin/env python3
"""
OJ Test Suite Downloader
Main entry point for the application

This module provides:
- Command-line argument parsing (login, download and submit subcommands)
- Logging configuration and management
- INI configuration with defaults for timeouts, paths and concurrency
- Session lifecycle: cookies are loaded when a service starts and saved on shutdown
- Error reporting and exit codes
"""

__version__ = "1.0.0"
__author__ = "OJ Test Suite Downloader Team"
__license__ = "MIT"
__description__ = "Download sample and full test suites from online judges"

import sys
import os
import json
import signal
import argparse
import logging
import platform
import traceback
import configparser
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple, Type

from scraper.base_scraper import BaseScraper
from scraper.yukicoder_scraper import YukicoderScraper
from service.base import Service
from service.credentials import SessionToken, StoredCredential
from service.download import DownloadOrchestrator, DownloadOutcome, DownloadProps
from service.session import HttpSession
from service.yukicoder import CREDENTIAL_ENV, SubmitProps, YukicoderService
from testsuite.destinations import DownloadDestinations
from utils.console import Console
from utils.error_handler import (
    OJDownloaderError, ErrorCategory, ErrorDetector, ErrorInfo, ErrorSeverity, error_reporter
)
from utils.file_manager import FileManager

logger = logging.getLogger(__name__)

# service name -> (service class, scraper class, credential environment variable)
SERVICES: Dict[str, Tuple[Type[Service], Type[BaseScraper], str]] = {
    "yukicoder": (YukicoderService, YukicoderScraper, CREDENTIAL_ENV),
}

EXIT_ERROR = 1
EXIT_INTERRUPTED = 130


class ApplicationManager:
    """
    Main application manager that handles configuration, logging and the lifecycle of the
    sessions opened by a command.
    """

    def __init__(self, config_dir: Optional[Path] = None, console: Optional[Console] = None):
        self.config_dir = Path(config_dir) if config_dir else Path.home() / ".oj_testsuite_downloader"
        self.config_file = self.config_dir / "config.ini"
        self.log_file = self.config_dir / "app.log"
        self.console = console or Console()
        self.config = configparser.ConfigParser()

        self.sessions: List[HttpSession] = []
        self.is_running = False

        # Command line overrides; None means "use config.ini"
        self.settings: Dict[str, Any] = {
            "log_level": "INFO",
            "timeout": None,
            "output": None,
            "silent": None,
        }

    def initialize(self, setup_logging: bool = True):
        """
        Initialize the application with all necessary configurations.
        """
        self._create_config_directory()
        self._load_configuration()
        if setup_logging:
            self._setup_logging()
            self._setup_signal_handlers()
        self.is_running = True
        logger.debug("Application initialized")

    def _create_config_directory(self):
        try:
            self.config_dir.mkdir(parents=True, exist_ok=True)
            logger.debug(f"Configuration directory: {self.config_dir}")
        except OSError as e:
            logger.error(f"Failed to create config directory: {e}")
            # Fallback to current directory
            self.config_dir = Path.cwd() / ".oj_testsuite_downloader"
            self.config_dir.mkdir(exist_ok=True)
            self.log_file = self.config_dir / "app.log"

    def _setup_logging(self):
        """
        Configure logging with file and console handlers.

        User-facing output goes through the Console on stdout, so log records are kept on
        stderr.
        """
        log_level = getattr(logging, self.settings.get("log_level", "INFO").upper())

        detailed_formatter = logging.Formatter(
            '%(asctime)s - %(name)s - %(levelname)s - %(filename)s:%(lineno)d - %(message)s'
        )
        simple_formatter = logging.Formatter(
            '%(asctime)s - %(levelname)s - %(message)s'
        )

        root_logger = logging.getLogger()
        root_logger.setLevel(logging.DEBUG)
        root_logger.handlers.clear()

        try:
            file_handler = logging.FileHandler(self.log_file, encoding='utf-8')
            file_handler.setLevel(logging.DEBUG)
            file_handler.setFormatter(detailed_formatter)
            root_logger.addHandler(file_handler)
        except OSError as e:
            print(f"Warning: Could not setup file logging: {e}", file=sys.stderr)

        console_handler = logging.StreamHandler(sys.stderr)
        console_handler.setLevel(log_level)
        console_handler.setFormatter(simple_formatter)
        root_logger.addHandler(console_handler)

        logger.debug(f"Logging configured. Level: {log_level}, Log file: {self.log_file}")

    def _load_configuration(self):
        """
        Load configuration from INI file, creating the default one when missing.
        """
        self._set_default_configuration()
        if self.config_file.exists():
            try:
                self.config.read(self.config_file, encoding='utf-8')
                logger.debug(f"Configuration loaded from {self.config_file}")
            except configparser.Error as e:
                logger.warning(f"Failed to load configuration: {e}. Using defaults.")
                self._set_default_configuration()
        else:
            self._create_default_configuration()

    def _set_default_configuration(self):
        self.config = configparser.ConfigParser()
        self.config['DEFAULT'] = {
            'timeout': '30',
            'silent': 'false',
            'login_max_attempts': '0',
            'max_concurrent_downloads': '4',
        }
        self.config['Paths'] = {
            'test_suites': 'tests/{service}/{contest}',
            'suite_extension': 'yaml',
            'cookies': str(self.config_dir / 'cookies' / '{service}.txt'),
        }

    def _create_default_configuration(self):
        try:
            self.config_file.parent.mkdir(parents=True, exist_ok=True)
            with open(self.config_file, 'w', encoding='utf-8') as f:
                self.config.write(f)
            logger.info(f"Default configuration created: {self.config_file}")
        except OSError as e:
            logger.error(f"Failed to create default configuration: {e}")

    def _setup_signal_handlers(self):
        def signal_handler(signum, frame):
            logger.info(f"Received signal {signum}, shutting down...")
            self.shutdown()
            sys.exit(128 + signum)

        # SIGINT is left to KeyboardInterrupt
        if platform.system() != 'Windows':
            signal.signal(signal.SIGTERM, signal_handler)

    # ------------------------------------------------------------------
    # Settings
    # ------------------------------------------------------------------

    @property
    def timeout(self) -> Optional[float]:
        if self.settings.get("timeout") is not None:
            timeout = float(self.settings["timeout"])
        else:
            timeout = self.config.getfloat('DEFAULT', 'timeout', fallback=30)
        return timeout if timeout > 0 else None

    @property
    def silent(self) -> bool:
        if self.settings.get("silent"):
            return True
        return self.config.getboolean('DEFAULT', 'silent', fallback=False)

    def destinations(self, service: str, contest: str) -> DownloadDestinations:
        template = self.settings.get("output") or self.config.get('Paths', 'test_suites')
        extension = self.config.get('Paths', 'suite_extension', fallback='yaml')
        return DownloadDestinations.from_template(template, service, contest, extension, FileManager())

    # ------------------------------------------------------------------
    # Commands
    # ------------------------------------------------------------------

    def start_service(self, name: str) -> Service:
        """
        Start a session for a service and wrap it with its scraper and credential

        The credential is read from the service's environment variable, if set.
        """
        if name not in SERVICES:
            raise OJDownloaderError(f"Unsupported service: {name!r} (supported: {', '.join(SERVICES)})")
        service_class, scraper_class, credential_env = SERVICES[name]

        cookies_path = Path(self.config.get('Paths', 'cookies').format(service=name)).expanduser()
        session = HttpSession.start(service_class.base_domain, cookies_path,
                                    silent=self.silent, timeout=self.timeout, console=self.console)
        self.sessions.append(session)

        token = os.environ.get(credential_env)
        credential = StoredCredential(SessionToken(token) if token else None)

        return service_class(
            session, scraper_class(), credential, self.console,
            login_max_attempts=self.config.getint('DEFAULT', 'login_max_attempts', fallback=0),
            max_concurrent_downloads=self.config.getint('DEFAULT', 'max_concurrent_downloads', fallback=4),
        )

    def run_login(self, service_name: str):
        service = self.start_service(service_name)
        return service.login(assure=True)

    def run_download(self, service_name: str, contest: str, problems: Optional[List[str]] = None,
                     open_in_browser: bool = False, only_scraped: bool = False) -> DownloadOutcome:
        service = self.start_service(service_name)
        props = DownloadProps(
            contest=contest,
            problems=problems or None,
            destinations=self.destinations(service_name, contest),
            open_in_browser=open_in_browser,
            only_scraped=only_scraped,
        )
        return DownloadOrchestrator(service).run(props)

    def run_submit(self, service_name: str, contest: str, problem: str, src_path: Path,
                   lang_id: Optional[str] = None, open_in_browser: bool = False,
                   skip_checking_if_accepted: bool = False) -> str:
        service = self.start_service(service_name)
        if not hasattr(service, 'submit'):
            raise OJDownloaderError(f"{service_name} does not support submission")
        props = SubmitProps(contest, problem, Path(src_path), lang_id, open_in_browser,
                            skip_checking_if_accepted)
        return service.submit(props)

    # ------------------------------------------------------------------
    # Errors and shutdown
    # ------------------------------------------------------------------

    def _handle_error(self, error: Exception, context: str = ""):
        """
        Report an error and print it for the user.
        """
        if isinstance(error, OJDownloaderError):
            error_info = error.error_info
        else:
            category = ErrorCategory.NETWORK if ErrorDetector.is_network_error(error) else ErrorCategory.UNKNOWN
            error_info = ErrorInfo(
                message=f"Error in {context}: {error}",
                category=category,
                severity=ErrorSeverity.HIGH,
                original_exception=error,
                context={"operation": context},
                traceback_str=traceback.format_exc()
            )
        error_reporter.report_error(error_info)

        print(f"Error: {error}", file=sys.stderr)
        if error_info.user_message:
            print(error_info.user_message, file=sys.stderr)
        for suggestion in error_info.recovery_suggestions:
            print(f"  - {suggestion}", file=sys.stderr)

    def shutdown(self):
        """
        Save cookies and close the sessions opened by this command.
        """
        if not self.is_running:
            return
        self.is_running = False

        for session in self.sessions:
            try:
                session.save_cookies()
            except OJDownloaderError as e:
                logger.error(f"Failed to save cookies: {e}")
            finally:
                session.close()
        self.sessions.clear()

        error_summary = error_reporter.get_error_summary()
        if error_summary["total_errors"]:
            logger.debug(f"Error summary: {error_summary}")
        logger.debug("Application shutdown completed")


def parse_arguments(argv: Optional[List[str]] = None):
    """
    Parse command line arguments.

    Returns:
        argparse.Namespace: Parsed arguments
    """
    parser = argparse.ArgumentParser(
        prog="oj-testsuite",
        description="OJ Test Suite Downloader",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  %(prog)s login yukicoder                             # Log in and save the session cookie
  %(prog)s download yukicoder no -p 1 2 3              # Download problems by number
  %(prog)s download yukicoder 200 --only-scraped       # A whole contest, samples only
  %(prog)s download yukicoder no -p 1 --open           # Also open the problem page
  %(prog)s submit yukicoder no 1 a.py --language python3
        """
    )

    parser.add_argument('--timeout', '-t', type=float,
                        help='Request timeout in seconds (0 for none, default: from config)')
    parser.add_argument('--output', '-o', type=str,
                        help='Suite directory template, may contain {service} and {contest}')
    parser.add_argument('--silent', '-s', action='store_true',
                        help='Do not print requests and progress bars')
    parser.add_argument('--log-level', '-l',
                        choices=['DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL'],
                        default='WARNING',
                        help='Set logging level for stderr (default: WARNING)')
    parser.add_argument('--config', '-c', type=str,
                        help='Path to custom configuration file')
    parser.add_argument('--version', '-v', action='version',
                        version=f'%(prog)s {__version__}')

    subparsers = parser.add_subparsers(dest='command', required=True)

    login_parser = subparsers.add_parser('login', help='Log in to a service')
    login_parser.add_argument('service', choices=sorted(SERVICES))

    download_parser = subparsers.add_parser('download', help='Download test suites')
    download_parser.add_argument('service', choices=sorted(SERVICES))
    download_parser.add_argument('contest', help='Contest id, or "no" for problems by number')
    download_parser.add_argument('--problems', '-p', nargs='+', help='Problems to download')
    download_parser.add_argument('--open', dest='open_in_browser', action='store_true',
                                 help='Open the problem pages in the browser')
    download_parser.add_argument('--only-scraped', action='store_true',
                                 help='Keep the sample cases and skip test case archives')
    download_parser.add_argument('--json', action='store_true',
                                 help='Print the outcome as JSON')

    submit_parser = subparsers.add_parser('submit', help='Submit a source file')
    submit_parser.add_argument('service', choices=sorted(SERVICES))
    submit_parser.add_argument('contest', help='Contest id, or "no" for problems by number')
    submit_parser.add_argument('problem')
    submit_parser.add_argument('src', type=Path, help='Source file')
    submit_parser.add_argument('--language', '-L', dest='lang_id',
                               help='Language id (default: guessed from the file extension)')
    submit_parser.add_argument('--open', dest='open_in_browser', action='store_true',
                               help='Open the submission in the browser')
    submit_parser.add_argument('--skip-checking-if-accepted', action='store_true',
                               help='Submit even if the problem is already solved')

    return parser.parse_args(argv)


def main(argv: Optional[List[str]] = None):
    """
    Main function of the OJ Test Suite Downloader command line.
    """
    app_manager = None
    exit_code = 0

    try:
        args = parse_arguments(argv)

        app_manager = ApplicationManager()
        app_manager.settings["log_level"] = args.log_level
        app_manager.settings["timeout"] = args.timeout
        app_manager.settings["output"] = args.output
        app_manager.settings["silent"] = args.silent
        if args.config:
            app_manager.config_file = Path(args.config)

        app_manager.initialize()

        if args.command == 'login':
            app_manager.run_login(args.service)
        elif args.command == 'download':
            outcome = app_manager.run_download(args.service, args.contest, args.problems,
                                               args.open_in_browser, args.only_scraped)
            if args.json:
                print(json.dumps(outcome.to_dict(), ensure_ascii=False, indent=2))
        elif args.command == 'submit':
            app_manager.run_submit(args.service, args.contest, args.problem, args.src,
                                   args.lang_id, args.open_in_browser,
                                   args.skip_checking_if_accepted)

    except KeyboardInterrupt:
        logger.info("Interrupted by user")
        exit_code = EXIT_INTERRUPTED

    except OJDownloaderError as e:
        if app_manager:
            app_manager._handle_error(e, "command")
        else:
            print(f"Error: {e}", file=sys.stderr)
        exit_code = EXIT_ERROR

    except Exception as e:
        logger.error(f"Fatal application error: {e}")
        logger.debug(traceback.format_exc())
        if app_manager:
            app_manager._handle_error(e, "command")
        else:
            print(f"Fatal application error: {e}", file=sys.stderr)
        exit_code = EXIT_ERROR

    finally:
        if app_manager:
            app_manager.shutdown()

    sys.exit(exit_code)


if __name__ == "__main__":
    main()
