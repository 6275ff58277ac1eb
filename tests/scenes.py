"""Scene documents used across tests."""


def rect(object_id="r1", **overrides):
    obj = {
        "id": object_id,
        "type": "rect",
        "left": 10,
        "top": 20,
        "width": 100,
        "height": 50,
        "fill": "#ff0000",
        "stroke": "#000000",
    }
    obj.update(overrides)
    return obj


def circle(object_id="c1", **overrides):
    obj = {
        "id": object_id,
        "type": "circle",
        "left": 200,
        "top": 40,
        "radius": 30,
        "width": 60,
        "height": 60,
        "fill": "#00ff00",
    }
    obj.update(overrides)
    return obj


def text(object_id="t1", **overrides):
    obj = {
        "id": object_id,
        "type": "i-text",
        "left": 5,
        "top": 5,
        "text": "Hello",
        "fontSize": 18,
        "fill": "#111111",
    }
    obj.update(overrides)
    return obj


def document(*objects):
    return {"version": "5.3.0", "objects": list(objects)}

