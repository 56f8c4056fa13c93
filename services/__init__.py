"""
Services Package

Stateful orchestration and pure derivations built on top of core and feeds:
- view_controller.py: History/Live state machine owning all mutable state
- series.py: stride downsampling into chart-ready series
- stats.py: latest/min/max/total-supply display statistics
- event_bus.py: pub/sub fan-out of controller state snapshots
"""
