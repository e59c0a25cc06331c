# Released under MIT License.
# Copyright (c) 2025 Ladislav Bartos and Robert Vacha Lab

"""
User notifications.

`Notifier` mails the user from inside a batch job and prints to the console
otherwise; `messages` holds the wording of every notification.
"""
