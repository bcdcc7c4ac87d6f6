#!/usr/bin/env python3
"""
Core Module

Shared configuration for the pricing service.

USAGE:
    from core.config import get_settings, setup_logging

    settings = get_settings()
    setup_logging(settings.logging)
"""
