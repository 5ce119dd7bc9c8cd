"""Module entrypoint.

Allows:
    python -m error_pulse
"""

from __future__ import annotations

from error_pulse.server.analytics_server import main

if __name__ == "__main__":
    main()
