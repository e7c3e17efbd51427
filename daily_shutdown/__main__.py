# daily_shutdown/__main__.py
# Copyright (c) 2024 Brad Edwards
# Licensed under the MIT License - see LICENSE file for details

import sys

from daily_shutdown.app import main

sys.exit(main())
