"""Course back office: enrollment and capacity core.

Candidate intake and approval, class seat accounting, class status
lifecycle, batch attendance recording and auditing of mutating operations.

Copyright (C) 2025 Global Digital Labs (gdlabs.io)
SPDX-License-Identifier: LGPL-3.0-or-later
"""

__version__ = "0.1.0"
