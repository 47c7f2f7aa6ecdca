"""Contact submission backend: store, notifier, ingestion workflow, HTTP API.

Contact form entries are appended to a durable collection and an email
notification is attempted for each one; persistence is the contract,
notification is best effort.
"""
