# SPDX-License-Identifier: AGPL-3.0-or-later
# Copyright (C) 2024-2026 The Truth Prevails Contributors

"""Truth Prevails: file notarization and verification API."""

__version__ = "0.1.0"
