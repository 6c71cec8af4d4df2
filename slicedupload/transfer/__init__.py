# Copyright (c) 2022-present, FriendliAI Inc. All rights reserved.

"""Batched, resumable slice transfers."""
