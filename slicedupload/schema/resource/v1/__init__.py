# Copyright (c) 2022-present, FriendliAI Inc. All rights reserved.

"""Resource schemas, version 1."""
