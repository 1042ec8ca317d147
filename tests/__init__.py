"""miniserver test suite.

Folder taxonomy
- unit/         : Isolated, fast checks of a single module/class/function.
- integration/  : Real subprocesses, sockets, signals and filesystem trees.
- e2e/          : The `miniserver` CLI, via CliRunner and as a real process.
- fixtures/     : Shared project fixtures (no tests here).

General guidance
- Keep unit fast and deterministic; prefer fakes over mocks at boundaries.
- Tests that deliver POSIX signals are skipped on Windows.
"""
