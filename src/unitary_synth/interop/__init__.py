"""
Interop Layer

Export of compiled programs to external circuit frameworks.

Requires: pip install unitary-synth[cirq]
"""
