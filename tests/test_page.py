from storagesim.page import Page


def test_default_page_is_invalid_and_clean():
    page = Page()
    assert page == Page(page_id=0, pin_count=0, is_dirty=False, is_valid=False)


def test_reset_restores_defaults():
    page = Page(page_id=9, pin_count=2, is_dirty=True, is_valid=True)
    page.reset()
    assert page == Page()


def test_fields_are_mutable():
    page = Page()
    page.pin_count += 1
    page.is_dirty = True
    assert page.pin_count == 1
    assert page.is_dirty is True


def test_reset_is_idempotent():
    page = Page(page_id=4, is_valid=True)
    page.reset()
    page.reset()
    assert page.is_valid is False
    assert page.page_id == 0