#!/usr/bin/env python

"""
    Lendable, a multi-tenant asset lending engine

    :copyright: (c) 2026 by AUTHORS
    :license: see LICENSE for more details
"""

__version__ = '0.1.0'
