# SPDX-License-Identifier: Apache-2.0

"""
Operational scripts (indexes, keys, dev tokens, payment worker).
"""
