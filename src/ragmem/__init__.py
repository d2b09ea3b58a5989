"""ragmem - Retrieval-augmented conversation memory.

ragmem attaches a corpus of free-text documents to conversations, ranks them
by lexical relevance, and resurfaces documents that already proved useful in a
conversation when assembling the prompt context for the next turn.

Key modules:

- :mod:`ragmem.memory` - Document store, relevance ranking, context associations,
  per-session conversation memory and the session cache
- :mod:`ragmem.llm` - Language model protocol and the Ollama client
- :mod:`ragmem.config` - YAML configuration schema and loader
- :mod:`ragmem.cli` - Typer command-line interface
"""

__version__ = "0.1.0"
