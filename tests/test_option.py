from tpbench.option import DEFAULT_ADDR, DEFAULT_PROTO, DEFAULT_SERVICE, Options


def test_defaults_match_documented_values():
    opts = Options()
    assert opts.protoname == "tcp"
    assert opts.addrname == "127.0.0.1"
    assert opts.servicename == "12345"
    assert opts.filename is None
    assert opts.ccname is None


def test_defaults_use_module_constants():
    opts = Options()
    assert (opts.protoname, opts.addrname, opts.servicename) == (
        DEFAULT_PROTO,
        DEFAULT_ADDR,
        DEFAULT_SERVICE,
    )


def test_fields_can_be_overridden_independently():
    opts = Options(addrname="localhost", filename="data.bin")
    assert opts.addrname == "localhost"
    assert opts.filename == "data.bin"
    assert opts.protoname == DEFAULT_PROTO
    assert opts.servicename == DEFAULT_SERVICE


def test_instances_do_not_share_state():
    first = Options()
    second = Options()
    first.servicename = "443"
    assert second.servicename == DEFAULT_SERVICE