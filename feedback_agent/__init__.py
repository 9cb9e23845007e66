# PR Review Feedback - Feedback Agent Package
#
# This package contains the 7-stage feedback pipeline that collects review
# feedback from a GitHub Pull Request and publishes it as a single checklist
# document. Each stage is in its own file following the
# one-function-per-file architecture pattern.
#
# The pipeline is orchestrated by feedback_pipeline_main.py and runs
# inside a GitHub Actions runner. It reads the PR number from the event
# payload, calls the GitHub REST and GraphQL APIs, and writes back to GitHub
# (a PR comment and a committed markdown file on the PR branch).
#
# Stage flow:
#   1. Normalize Comments -> 2. Extract Structured Blocks -> 3. Filter Noise
#   -> 4. Reconcile Resolution -> 5. Aggregate Feedback
#   -> 6. Render Markdown -> 7. Publish Feedback
