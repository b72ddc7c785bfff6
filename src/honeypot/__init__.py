"""
Honeypot - Discord honeypot-channel moderation bot

Every server gets one designated honeypot channel. Spam bots post
everywhere; humans read the warning and stay out. Whoever posts there anyway
is DMed, banned or softbanned, and counted.

Core Components:

- **Trigger Pipeline**: Ordered react / DM / moderate / record / refresh /
  report steps with a per-step result record
- **Lifecycle Reconciler**: First-contact setup and self-healing when the
  honeypot channel or warning message disappears
- **Configuration**: Ephemeral settings form with permission preflight and
  all-or-nothing persistence
- **Experiments**: Opt-in toggles, including a daily keep-alive message and
  channel renames
"""

__version__ = "0.1.0"
