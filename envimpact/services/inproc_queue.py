"""In-process queue carrying job handles from the gateway to the workers."""

import queue

# `queue.Queue` is threadsafe, so request handlers and worker threads can share it.
Q: "queue.Queue[str]" = queue.Queue()
