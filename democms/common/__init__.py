"""
Package: democms.common
Logging, status codes, error handlers and CLI commands
"""
