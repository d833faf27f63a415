from osaurus_sdk import Osaurus

with Osaurus.make() as client:
    for model in sorted(client.list_models(), key=lambda m: m.id):
        print(model.display_name)

    text = "me and him goes to the store yesterday"
    with client.tweak_stream(text) as stream:
        for delta in stream:
            print(delta, end="", flush=True)

    # Some servers ignore `stream`; fall back to a blocking call.
    if not stream.text:
        print(client.tweak(text), end="")
    print()
