# SPDX-FileCopyrightText: 2025-present DouglasMacKrell <d.mackrell@gmail.com>
#
# SPDX-License-Identifier: MIT

"""medialib - Local media indexing and query library."""

from medialib.__about__ import __version__

__all__ = ["__version__"]
