import pytest

from typedci import define_action, types
from typedci.ui.console import Console, set_console


@pytest.fixture(autouse=True)
def quiet_console():
    """Every test starts with a fresh non-debug console."""
    set_console(Console(debug=False))
    yield
    set_console(Console(debug=False))


@pytest.fixture
def build_image():
    return define_action(
        "build-image",
        inputs={
            "registry": types.string,
            "tag": types.with_default(types.string, "latest"),
        },
        outputs=["imageRef"],
        run='IMAGE="$INPUT_registry:$INPUT_tag"\nbuildah build -t "$IMAGE" .\nOUTPUT_imageRef="$IMAGE"\n',
        description="Build a container image",
    )


@pytest.fixture
def push_image():
    return define_action(
        "push-image",
        inputs={"imageRef": types.string},
        run='buildah push "$INPUT_imageRef"\n',
    )


@pytest.fixture
def make_tag():
    return define_action(
        "make-tag",
        outputs=["imageTag"],
        run='OUTPUT_imageTag="v1"\n',
    )
