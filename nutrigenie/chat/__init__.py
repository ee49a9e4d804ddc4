# -*- coding: utf-8 -*-
"""Chat (coach conversations, tool calls, thread storage)."""
