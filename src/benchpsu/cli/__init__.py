"""
Command-line interface for benchpsu.

Built with Click. Every instrument command takes `--port/-p` (or `--mock`
for a simulated supply), opens the supply, runs, and closes it again.
Failures print the error and exit with status 1.

Examples
--------
```bash
$ benchpsu set -p COM5 -v 5.0
$ benchpsu on -p COM5
$ benchpsu read -p COM5 --watch --interval 0.5
$ benchpsu status --mock
```

CLI Tree
--------

```
$ benchpsu --tree
cli
└── off
└── on
└── ports
└── read
└── set
└── status
└── toggle
└── visa
```
"""

from .base import check, cli, psu_options, tree_option

__all__ = ["check", "cli", "psu_options", "tree_option"]
