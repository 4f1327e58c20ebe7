from playpublish.ui.cli import run

run()
