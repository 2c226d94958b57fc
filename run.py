#!/usr/bin/env python3
"""
Diamond Dash - Main Entry Point
Pitcher workload and arm-care tracker for youth baseball coaches
"""

from diamond_dash.main import main

if __name__ == '__main__':
    main()
