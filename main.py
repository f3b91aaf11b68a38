from rich.pretty import pprint

from helmsman import *


@command(flags=[Flag("force", "f", usage="overwrite existing files")])
def build(context):
    """Build the project."""
    pprint(context)


app = App(
    "demo",
    usage="helmsman demo",
    version="0.1.0",
    commands=[
        build,
        Command("remote", usage="Manage remotes", subcommands=[
            command(lambda context: pprint(context.args), name="add", usage="Add a remote", args_usage="NAME URL"),
        ]),
    ],
    enable_bash_completion=True,
)


if __name__ == '__main__':
    pprint(app)
    app.run()
