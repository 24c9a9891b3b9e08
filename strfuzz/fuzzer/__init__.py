"""Black-box mutation fuzzing engine.

Implements survivor-based string fuzzing with:
  - A fixed catalog of weighted string mutation operators
  - Cumulative-threshold weighted operator selection
  - A one-process-per-input execution harness
  - A multi-pass generation loop that keeps only passing inputs
"""
