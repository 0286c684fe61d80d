from deckctl.cli import run

run()
