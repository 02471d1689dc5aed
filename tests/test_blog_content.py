from blog_content import (
    ContentImage,
    absolutize_image_sources,
    clean_content,
    collect_images,
    remove_duplicate_title,
    remove_metadata_blocks,
    remove_reading_time_list,
    strip_filler_text,
)


def test_remove_duplicate_title_drops_matching_and_contained_headings():
    markup = '<h1>Big News Today</h1><h1>big news</h1><h1>Other heading</h1><p>Body</p>'
    cleaned = remove_duplicate_title(markup, '  Big News Today ')
    assert 'Big News Today' not in cleaned
    assert 'big news' not in cleaned
    assert '<h1>Other heading</h1>' in cleaned
    assert '<p>Body</p>' in cleaned


def test_remove_duplicate_title_is_noop_without_title():
    markup = '<h1>Heading</h1><p>Body</p>'
    assert remove_duplicate_title(markup, '') == markup


def test_remove_metadata_blocks_only_scans_first_five_children():
    markup = (
        '<p>5 min read</p>'
        '<div>Mar 3, 2024</div>'
        '<p>Intro paragraph</p>'
        '<p>Second</p>'
        '<p>Third</p>'
        '<p>Fourth</p>'
        '<p>2 min read</p>'
    )
    cleaned = remove_metadata_blocks(markup)
    assert '5 min read' not in cleaned
    assert 'Mar 3, 2024' not in cleaned
    assert 'Intro paragraph' in cleaned
    # seventh child is outside the scan window
    assert '2 min read' in cleaned


def test_remove_metadata_blocks_keeps_long_paragraphs():
    long_text = 'This article takes about 5 min read time. ' * 10
    markup = f'<p>{long_text}</p>'
    assert 'min read' in remove_metadata_blocks(markup)


def test_remove_reading_time_list_removes_only_first_match():
    markup = '<ul><li>Jan 1</li><li>3 min read</li></ul><ul><li>4 min read</li></ul>'
    cleaned = remove_reading_time_list(markup)
    assert '3 min read' not in cleaned
    assert '4 min read' in cleaned


def test_strip_filler_text_is_case_insensitive():
    markup = '<p>Intro</p><p>This is just to fill empty area of this tag</p><p>THIS IS JUST TO FILL EMPTY AREA OF THIS TAG</p>'
    cleaned = strip_filler_text(markup)
    assert 'fill empty area' not in cleaned.lower()
    assert '<p>Intro</p>' in cleaned


def test_absolutize_image_sources_resolves_against_page_url():
    markup = '<img src="/media/a.png"><img src="https://cdn.example.com/b.jpg">'
    cleaned = absolutize_image_sources(markup, 'https://blog.example.com/post/hello')
    assert 'src="https://blog.example.com/media/a.png"' in cleaned
    assert 'src="https://cdn.example.com/b.jpg"' in cleaned


def test_collect_images_numbers_every_image_in_document_order():
    markup = '<p><img src="https://a.example.com/1.png"></p><img><img src="https://a.example.com/3.png">'
    assert collect_images(markup) == [
        ContentImage(source_url='https://a.example.com/1.png', index=0),
        ContentImage(source_url='', index=1),
        ContentImage(source_url='https://a.example.com/3.png', index=2),
    ]


def test_clean_content_runs_every_pass():
    markup = (
        '<h1>Hello World</h1>'
        '<p>3 min read</p>'
        '<p>Real body text</p>'
        '<img src="pic.jpg">'
        '<p>this is just to fill empty area of this tag</p>'
    )
    payload = clean_content(markup, title='Hello World', base_url='https://blog.example.com/posts/hello')
    assert 'Hello World' not in payload.body
    assert 'min read' not in payload.body
    assert 'Real body text' in payload.body
    assert 'fill empty area' not in payload.body
    assert payload.images == [ContentImage(source_url='https://blog.example.com/posts/pic.jpg', index=0)]
