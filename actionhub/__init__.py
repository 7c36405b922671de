"""
ActionHub: Operator-Defined Actions for LLM Agents

Named actions (HTTP calls, shell commands, multi-step compositions) defined
by an operator and exposed to an LLM agent as tools:
- Resolution: templated requests built from caller parameters
- Execution: HTTP, whitelisted local processes, sequential composites
- Audit: one redacted log entry per invocation
"""

__version__ = "0.1.0"
__author__ = "ActionHub Team"
