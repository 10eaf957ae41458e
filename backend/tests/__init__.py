# Copyright (c) 2025 adcl.io
# All Rights Reserved.
#
# This software is proprietary and confidential. Unauthorized copying,
# distribution, or use of this software is strictly prohibited.

"""
Test Suite for flowrunner

Structure:
- workflow/: Engine tests (ordering, templates, node executors, coordinator)
- unit/: Store, service, configuration and logging tests
- test_api.py / test_cli.py: Trigger surfaces
"""
