"""
Greeting package.

Request-level use-cases that sit on top of the validators: plain and
personalised greetings, user lookups and the welcome line shown to an
authenticated subject. Everything here raises shared.errors failures so
the HTTP layer can render them without knowing where they came from.
"""
