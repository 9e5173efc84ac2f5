#!/usr/bin/env python
"""
Order Detail Pipeline - Launcher

Usage:
    python run_pipeline.py scrape
    python run_pipeline.py upload

Environment Variables (set in .env file):
    - BILL_COOKIE: Session cookie for the billing system (required for scrape)
    - USE_LOCAL_STORAGE: 'true' to keep state under ./data instead of GCS
    - GCS_BUCKET: Bucket holding the checkpoint (default: order-pipeline-files)
    - FIRESTORE_PROJECT: Project of the orders collection (default: from credentials)

See backend/pipeline_cli.py for the full list.
"""

import os
import sys

# Add backend to path
sys.path.insert(0, os.path.join(os.path.dirname(__file__), 'backend'))

from dotenv import load_dotenv

# Load environment variables before any backend module reads them
load_dotenv()

from pipeline_cli import main

if __name__ == '__main__':
    sys.exit(main())
