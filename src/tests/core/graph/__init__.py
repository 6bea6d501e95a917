"""Test suite for the graph system.

1. Engine tests (test_base.py)
   - Builder, validation and consumption
   - End-to-end runs, routing and subgraphs
   - Timeout and retry policy
   - Error mapping

2. Node tests (nodes/)
   - Base node, function nodes and method nodes

3. State management (test_state.py)
   - Update families and strategies
   - Output folding

4. Context, configuration and edges
"""
