from rich import print

from argosy import *


@command(args=define_args(
    who=Positional("who to greet", default="world"),
    loud=Boolean("shout the greeting", alias="l"),
    times=Number("how many greetings", default=1, allowed=[1, 2, 3]),
))
def greet(ctx):
    """Say hello."""
    message = "hello, %s" % ctx.args["who"]
    for _ in range(ctx.args["times"]):
        print(message.upper() if ctx.args["loud"] else message)


@command(args=define_args({
    "tags": Array("labels to attach", alias="t"),
    "dry-run": Boolean("only show what would happen", alias="n"),
}))
async def tag(ctx):
    """Attach labels."""
    print({"tags": ctx.args["tags"], "dry_run": ctx.args["dry-run"]})


main = define_command(
    {"name": "demo", "version": "0.1.0", "description": "argosy demo"},
    commands={"greet": greet, "tag": tag},
)


if __name__ == '__main__':
    create_cli(main, file_based=False).launch()
