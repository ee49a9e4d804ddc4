# -*- coding: utf-8 -*-
"""NutriGenie backend: AI nutrition coaching API (auth, profile, chat, meal plans)."""
