import orjson
from rest_framework.renderers import JSONRenderer


class ORJSONRenderer(JSONRenderer):
    """
    以 orjson 序列化的 JSON renderer，成功回應會包成 {"status", "code", "data"}。
    """
    media_type = 'application/json'
    charset = None
    render_style = 'binary'
    options = orjson.OPT_NON_STR_KEYS | orjson.OPT_SERIALIZE_DATACLASS | orjson.OPT_NAIVE_UTC

    def render(self, data, accepted_media_type=None, renderer_context=None):
        if data is None:
            return b''
        response = (renderer_context or {}).get('response')
        if response is not None and not response.exception and not _is_envelope(data):
            data = {"status": "success", "code": response.status_code, "data": data}
        return orjson.dumps(data, option=self.options)


def _is_envelope(data) -> bool:
    return isinstance(data, dict) and data.get("status") in {"success", "error"}
