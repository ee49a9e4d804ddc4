# -*- coding: utf-8 -*-
"""Profile & account (onboarding, health profile, avatar, deletion)."""
