# SPDX-License-Identifier: Apache-2.0

"""
Domain logic package for the City Resolve platform.

This package contains pure business rules with no side effects: the quota
policy, the lifecycle transition table and the issue query builders.
"""
