#!/usr/bin/env python3
"""
Celery worker script for notification tasks
"""
import os
import sys

# Make the housing_trends package importable when run from a checkout
sys.path.insert(0, os.path.dirname(os.path.abspath(__file__)))

from housing_trends.core.celery_app import celery_app

if __name__ == '__main__':
    celery_app.start()
