# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""
City Resolve API: civic issue reporting and resolution.
"""
