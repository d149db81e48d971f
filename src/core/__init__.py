"""Core domain package for goldwatch.

Core contains scheduling, threshold, and deduplication logic without any
Telegram, HTTP or storage-specific code, keeping the business logic portable.
"""
