"""
Service package for OJ Test Suite Downloader
Contains the HTTP session, login, archive extraction, download orchestration and the
judge-specific services

Modules are imported directly (e.g. `from service.session import HttpSession`); the scraper
package depends on service.credentials, so nothing is imported here.
"""
