"""
Execution strategies for extraction requests.

- batch_orchestrator: one asynchronous batch job per run (strategy A)
- throttled_executor: sequential calls under a rolling token budget (strategy B)
"""
