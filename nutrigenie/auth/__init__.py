# -*- coding: utf-8 -*-
"""Auth (registration, login, bearer-token identity gate)."""
