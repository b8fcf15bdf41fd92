#!/usr/bin/env python3
"""
Face Registry - Main Entry Point

Run this file to manage known faces and recognise faces in images.
"""

import sys

from face_registry.main import main

if __name__ == '__main__':
    sys.exit(main())
